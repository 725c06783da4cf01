import os
import json
import psutil
from importlib import metadata

from sepia_bids.scripts.logger import LogLevel, make_logger

def is_editable_package(package_name):
    """
    Determine if a package was installed in "editable" mode.

    :param package_name: The name of the package.
    :return: True if the package was installed in editable mode, False otherwise.
    """
    try:
        direct_url = metadata.distribution(package_name).read_text('direct_url.json')
    except metadata.PackageNotFoundError:
        return False
    if not direct_url:
        return False
    return json.loads(direct_url).get('dir_info', {}).get('editable', False)

def get_sepia_bids_version():
    try:
        version = metadata.version('sepia-bids')
    except metadata.PackageNotFoundError:
        return "unknown (not installed)"
    return version + (" (linked installation)" if is_editable_package('sepia-bids') else "")

def get_output_dir(output_prefix):
    """Directory that files named '<output_prefix>...' are written to."""
    output_dir = os.path.dirname(output_prefix)
    return os.path.abspath(output_dir) if output_dir else os.getcwd()

def check_memory(n_bytes, name):
    logger = make_logger()
    mem_gb = round(n_bytes / (1024 ** 3), 3)
    mem_avail = round(psutil.virtual_memory().available / (1024 ** 3) * 0.90, 3)
    logger.log(LogLevel.DEBUG.value, f"{name} requires {mem_gb} GB.")
    if mem_gb > mem_avail:
        logger.log(LogLevel.WARNING.value, f"{name} requires {mem_gb} GB of memory, which is greater than the available memory {mem_avail} GB!")
        return False
    return True

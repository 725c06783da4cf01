#!/usr/bin/env python3
import json
import nibabel as nib
import numpy as np
from scipy.io import savemat

from sepia_bids.scripts.errors import MissingMetadataError
from sepia_bids.scripts.logger import LogLevel, make_logger

# gyromagnetic ratio of 1H in MHz/T
GAMMA_BAR = 42.57747892

def load_json(path):
    with open(path, encoding='utf-8') as f:
        j = json.load(f)
    return j

def _get_field(json_data, json_path, field):
    if field not in json_data or json_data[field] is None:
        raise MissingMetadataError(json_path, field)
    try:
        return float(json_data[field])
    except (TypeError, ValueError):
        raise MissingMetadataError(json_path, field)

def _get_optional_field(json_data, field):
    try:
        return float(json_data[field])
    except (KeyError, TypeError, ValueError):
        return None

def get_b0_dir(affine):
    """Main field direction (scanner z) expressed in the voxel axes of the image."""
    rotation = np.asarray(affine, dtype=float)[:3, :3]
    rotation = rotation / np.linalg.norm(rotation, axis=0)
    b0_dir = rotation[2, :]
    return b0_dir / np.linalg.norm(b0_dir)

def build_sepia_header(nifti_filename, json_files):
    """
    Collect the acquisition parameters SEPIA needs.

    Parameters
    ----------
    nifti_filename : str
        Magnitude image the header describes; only its header is read.
    json_files : list of str
        JSON sidecars ordered by echo.

    Returns
    -------
    dict with TE, delta_TE, B0, CF, B0_dir, matrixSize and voxelSize
    """
    logger = make_logger()
    nii = nib.load(nifti_filename)

    sidecars = [(path, load_json(path)) for path in json_files]
    te = np.array([_get_field(data, path, 'EchoTime') for path, data in sidecars])
    b0 = _get_field(sidecars[0][1], sidecars[0][0], 'MagneticFieldStrength')

    imaging_frequency = _get_optional_field(sidecars[0][1], 'ImagingFrequency')
    if imaging_frequency is not None:
        cf = imaging_frequency * 1e6
    else:
        logger.log(LogLevel.DEBUG.value, f"No usable ImagingFrequency in {sidecars[0][0]}; deriving centre frequency from B0.")
        cf = b0 * GAMMA_BAR * 1e6

    delta_te = float(np.mean(np.diff(te))) if len(te) > 1 else float(te[0])

    return {
        'TE': te,
        'delta_TE': delta_te,
        'B0': b0,
        'CF': cf,
        'B0_dir': get_b0_dir(nii.affine),
        'matrixSize': np.array(nii.shape[:3]),
        'voxelSize': np.array(nii.header.get_zooms()[:3], dtype=float),
    }

def save_sepia_header(header, output_prefix):
    header_filename = f"{output_prefix}header.mat"
    savemat(header_filename, header)
    return header_filename

def save_sepia_header_from_bids(nifti_filename, json_files, output_prefix):
    logger = make_logger()
    header = build_sepia_header(nifti_filename, json_files)
    logger.log(LogLevel.INFO.value, f"Echo times: {', '.join(str(t) for t in header['TE'])} s; B0 = {header['B0']} T")
    return save_sepia_header(header, output_prefix)

#!/usr/bin/env python3
import nibabel as nib
import numpy as np

from sepia_bids.scripts.errors import EchoIndexGapError, ShapeMismatchError, UnsupportedDimensionalityError
from sepia_bids.scripts.logger import LogLevel, make_logger
from sepia_bids.scripts.sepia_functions import check_memory

PHASE_TOLERANCE = 1e-4

def is_radians(data, tolerance=PHASE_TOLERANCE):
    """True when the data range already spans [-pi, +pi] within tolerance."""
    return abs(np.max(data) - np.pi) <= tolerance and abs(np.min(data) + np.pi) <= tolerance

def dicom_to_phase(data):
    """Linearly map stored phase values (e.g. DICOM integers) onto [-pi, +pi]."""
    data_min, data_max = np.min(data), np.max(data)
    if data_max == data_min:
        return np.zeros(data.shape, dtype=np.float32)
    return np.array(np.interp(data, (data_min, data_max), (-np.pi, +np.pi)), dtype=np.float32)

def load_echo(filename, is_phase=False):
    """
    Load one echo with rescale slope and intercept applied.

    Phase data outside [-pi, +pi] is converted to radians.

    Returns
    -------
    (nibabel image, float32 voxel array)
    """
    logger = make_logger()
    nii = nib.load(filename)
    data = nii.get_fdata(dtype=np.float32)
    if is_phase and not is_radians(data):
        logger.log(LogLevel.DEBUG.value, f"Phase range of {filename} is [{np.min(data)}, {np.max(data)}]; converting to radians.")
        data = dicom_to_phase(data)
    return nii, data

def save_nifti(template_nii, data, filename):
    header = template_nii.header.copy()
    header.set_data_dtype(np.float32)
    nib.save(nib.Nifti1Image(np.asarray(data, dtype=np.float32), template_nii.affine, header), filename)
    return filename

def stack_echoes(file_list, is_phase=False, ndim=3):
    """
    Load every echo of a validated file list into one array with echoes on a new last axis.

    Each volume is written straight into its slot of a pre-sized buffer using
    the echo index of its FileEntry, so the file list may be in any order.

    Parameters
    ----------
    file_list : list of FileEntry
        Echo indices must be exactly 1..len(file_list).
    is_phase : bool
    ndim : int
        Dimensions of each echo volume. Volumes with fewer dimensions are
        padded with trailing singleton axes, volumes with more are rejected.

    Returns
    -------
    (ndarray, nibabel image of the highest echo)
    """
    num_echoes = len(file_list)
    stack = None
    filled = [False] * num_echoes
    template_nii = None

    for entry in file_list:
        echo = entry.echo
        if echo is None or not 1 <= echo <= num_echoes or filled[echo - 1]:
            raise EchoIndexGapError(
                f"Echo index {echo} of {entry.name} does not fit a complete set of echoes 1..{num_echoes}.",
                files=[entry.name]
            )

        nii, data = load_echo(entry.name, is_phase)
        if data.ndim > ndim:
            raise UnsupportedDimensionalityError(entry.name, data.ndim, max_ndim=ndim)
        if data.ndim < ndim:
            data = data.reshape(data.shape + (1,) * (ndim - data.ndim))

        if stack is None:
            check_memory(data.nbytes * num_echoes, f"Merging {num_echoes} echoes")
            stack = np.zeros(data.shape + (num_echoes,), dtype=np.float32)
        elif data.shape != stack.shape[:-1]:
            raise ShapeMismatchError(entry.name, data.shape, stack.shape[:-1])

        stack[..., echo - 1] = data
        filled[echo - 1] = True
        if echo == num_echoes:
            template_nii = nii

    return stack, template_nii

def merge_echoes_4d(file_list, output_filename, is_phase=False):
    """Merge 3D per-echo volumes into a single 4D [x, y, z, echo] NIfTI."""
    img, template_nii = stack_echoes(file_list, is_phase, ndim=3)
    return save_nifti(template_nii, img, output_filename)

def merge_echoes_multivolume(file_list, manifest, is_phase=False):
    """
    Merge 4D per-echo volumes and split them into one 4D [x, y, z, echo] NIfTI per volume.

    Volume v is written to the phase or magnitude filename of manifest[v].
    """
    img, template_nii = stack_echoes(file_list, is_phase, ndim=4)

    # [x, y, z, vol, echo] -> [x, y, z, echo, vol]
    img = np.transpose(img, (0, 1, 2, 4, 3))
    num_volumes = img.shape[4]
    if num_volumes != len(manifest):
        raise ShapeMismatchError(
            file_list[0].name, img.shape[:3] + (num_volumes,), img.shape[:3] + (len(manifest),), reference="the phase data"
        )

    out_files = []
    for v in range(num_volumes):
        out_file = manifest[v].phase if is_phase else manifest[v].magnitude
        out_files.append(save_nifti(template_nii, img[:, :, :, :, v], out_file))
    return out_files

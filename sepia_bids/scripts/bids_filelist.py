#!/usr/bin/env python3
"""
Read a BIDS directory of GRE magnitude/phase NIfTI files into the SEPIA file list.

Multi-echo acquisitions stored as one file per echo are merged into a single
4D volume per part, or one 4D volume per repetition when each echo file is
already 4D, and the SEPIA header is written from the JSON sidecars.
"""

import os
import re
from collections import namedtuple

import nibabel as nib

from sepia_bids.scripts.errors import (
    CountMismatchError, EchoIndexGapError, MissingInputError, MixedAcquisitionError,
    NoEchoKeyError, UnsupportedDimensionalityError
)
from sepia_bids.scripts.logger import LogLevel, make_logger
from sepia_bids.scripts.nifti_merge import merge_echoes_4d, merge_echoes_multivolume
from sepia_bids.scripts.sepia_functions import get_output_dir
from sepia_bids.scripts.sepia_header import save_sepia_header_from_bids

SINGLE_ECHO = 'single-echo'
MULTI_ECHO = 'multi-echo'

EXTENSIONS = {
    'nii': ('.nii', '.nii.gz'),
}

ECHO_KEY = 'echo-'
ECHO_PATTERN = re.compile(r'echo-(\d+)', re.IGNORECASE)
ECHO_SEGMENT_PATTERN = re.compile(r'_?echo-\d*', re.IGNORECASE)

FileEntry = namedtuple('FileEntry', ['name', 'echo'])


class ManifestEntry(namedtuple('ManifestEntry', ['phase', 'magnitude', 'reserved', 'header'])):
    """One SEPIA input list: phase, magnitude, reserved (always empty) and header filenames."""
    __slots__ = ()

    def as_list(self):
        return [self.phase, self.magnitude, self.reserved, self.header]


def parse_echo_index(filename):
    match = ECHO_PATTERN.search(os.path.basename(filename))
    return int(match.group(1)) if match else None

def acquisition_key(filename):
    """Basename with the BIDS 'echo' key removed."""
    return ECHO_SEGMENT_PATTERN.sub('', os.path.basename(filename))

def scan_directory(directory, pattern, extension):
    """
    Find files in directory (non-recursive) whose name contains pattern and ends with extension.

    Matching is case-insensitive. The 'nii' extension also matches '.nii.gz'.

    Returns
    -------
    (list of FileEntry, number of files)
    """
    extensions = EXTENSIONS.get(extension, (f".{extension}",))
    files = []
    for f in sorted(os.listdir(directory)):
        path = os.path.join(directory, f)
        if not os.path.isfile(path):
            continue
        name = f.lower()
        if pattern.lower() in name and name.endswith(extensions):
            files.append(FileEntry(path, parse_echo_index(f)))
    return files, len(files)

def select_route(mag_num_files, phase_num_files, json_num_files):
    if mag_num_files == 0:
        raise MissingInputError('magnitude', key='part-mag')
    if phase_num_files == 0:
        raise MissingInputError('phase', key='part-phase')
    if json_num_files == 0:
        raise MissingInputError('JSON', key='part-mag', kind='sidecar')

    if mag_num_files == 1 and phase_num_files == 1 and json_num_files == 1:
        return SINGLE_ECHO
    return MULTI_ECHO

def filter_echo_key(file_list):
    """Keep the files that carry the BIDS 'echo' key."""
    logger = make_logger()
    filtered = [entry for entry in file_list if ECHO_KEY in os.path.basename(entry.name).lower()]
    if not filtered:
        logger.log(LogLevel.ERROR.value, "Checking if the files are multi-echo compatible... Failed!")
        raise NoEchoKeyError([entry.name for entry in file_list])
    logger.log(LogLevel.INFO.value, "Checking if the files are multi-echo compatible... Passed!")
    return filtered

def validate_single_acquisition(file_list):
    logger = make_logger()
    reference = acquisition_key(file_list[0].name).lower()
    for entry in file_list[1:]:
        if acquisition_key(entry.name).lower() != reference:
            logger.log(LogLevel.ERROR.value, "Checking if the files are coming from a single acquisition... Failed!")
            raise MixedAcquisitionError(file_list[0].name, entry.name)
    logger.log(LogLevel.INFO.value, "Checking if the files are coming from a single acquisition... Passed!")

def validate_echo_indices(file_list):
    """
    Check that the echo indices are exactly 1..N and return the list in echo order.
    """
    missing = [entry.name for entry in file_list if entry.echo is None]
    if missing:
        raise EchoIndexGapError(f"Could not read an echo number from: {', '.join(missing)}", files=missing)

    echoes = sorted(entry.echo for entry in file_list)
    expected = list(range(1, len(file_list) + 1))
    if echoes != expected:
        offending = [entry.name for entry in file_list if entry.echo not in expected or echoes.count(entry.echo) > 1]
        raise EchoIndexGapError(
            f"Echo numbers {echoes} do not form a complete set 1..{len(file_list)}."
            + (f" Offending files: {', '.join(offending)}" if offending else ""),
            files=offending
        )
    return sorted(file_list, key=lambda entry: entry.echo)

def validate_modality(file_list, modality):
    logger = make_logger()
    logger.log(LogLevel.INFO.value, f"Multiple {modality} files are detected.")
    file_list = filter_echo_key(file_list)
    validate_single_acquisition(file_list)
    return file_list

def default_manifest(output_prefix):
    return [ManifestEntry(
        phase=f"{output_prefix}part-phase.nii.gz",
        magnitude=f"{output_prefix}part-mag.nii.gz",
        reserved=None,
        header=f"{output_prefix}header.mat"
    )]

def multivolume_manifest(output_prefix, num_volumes):
    return [
        ManifestEntry(
            phase=f"{output_prefix}part-phase_vol-{v}.nii.gz",
            magnitude=f"{output_prefix}part-mag_vol-{v}.nii.gz",
            reserved=None,
            header=f"{output_prefix}header.mat"
        )
        for v in range(1, num_volumes + 1)
    ]

def merge_by_dimensionality(phase_files, mag_files, output_prefix):
    """Merge validated, echo-ordered phase and magnitude lists according to the phase dimensionality."""
    logger = make_logger()
    phase_header = nib.load(phase_files[0].name).header
    ndim = int(phase_header['dim'][0])

    if ndim < 4:
        manifest = default_manifest(output_prefix)
        logger.log(LogLevel.INFO.value, "Saving multi-echo phase data into a single volume...")
        merge_echoes_4d(phase_files, manifest[0].phase, is_phase=True)
        logger.log(LogLevel.INFO.value, "Saving multi-echo magnitude data into a single volume...")
        merge_echoes_4d(mag_files, manifest[0].magnitude, is_phase=False)
    elif ndim == 4:
        num_volumes = int(phase_header['dim'][4])
        logger.log(LogLevel.INFO.value, f"NIfTI data has {num_volumes} volumes per echo. Saving 4D multi-echo data per volume...")
        manifest = multivolume_manifest(output_prefix, num_volumes)
        merge_echoes_multivolume(phase_files, manifest, is_phase=True)
        merge_echoes_multivolume(mag_files, manifest, is_phase=False)
    else:
        raise UnsupportedDimensionalityError(phase_files[0].name, ndim)

    logger.log(LogLevel.INFO.value, "Done.")
    return manifest

def convert(input_dir, output_prefix):
    """
    Convert a BIDS GRE directory into SEPIA input file lists.

    Parameters
    ----------
    input_dir : str
        Directory holding '*part-mag*.nii*', '*part-phase*.nii*' and '*part-mag*.json' files.
    output_prefix : str
        Path and basename stem of every file written.

    Returns
    -------
    list of ManifestEntry, one per output volume
    """
    logger = make_logger()
    logger.log(LogLevel.INFO.value, f"Checking input directory {input_dir} for BIDS format")

    mag_files, mag_num_files = scan_directory(input_dir, 'part-mag', 'nii')
    phase_files, phase_num_files = scan_directory(input_dir, 'part-phase', 'nii')
    json_files, json_num_files = scan_directory(input_dir, 'part-mag', 'json')
    logger.log(LogLevel.DEBUG.value, f"Found {mag_num_files} magnitude, {phase_num_files} phase and {json_num_files} JSON files.")

    route = select_route(mag_num_files, phase_num_files, json_num_files)
    os.makedirs(get_output_dir(output_prefix), exist_ok=True)

    if route == SINGLE_ECHO:
        logger.log(LogLevel.INFO.value, f"One magnitude image is found: {mag_files[0].name}")
        logger.log(LogLevel.INFO.value, f"One phase image is found: {phase_files[0].name}")
        manifest = [default_manifest(output_prefix)[0]._replace(
            phase=phase_files[0].name,
            magnitude=mag_files[0].name
        )]
    else:
        mag_files = validate_modality(mag_files, 'magnitude')
        phase_files = validate_modality(phase_files, 'phase')
        json_files = validate_modality(json_files, 'JSON')

        if len(mag_files) != len(phase_files):
            raise CountMismatchError(len(mag_files), len(phase_files))
        if len(json_files) != len(mag_files):
            logger.log(LogLevel.WARNING.value, f"Found {len(json_files)} JSON files for {len(mag_files)} echoes.")

        mag_files = validate_echo_indices(mag_files)
        phase_files = validate_echo_indices(phase_files)
        json_files = sorted(json_files, key=lambda entry: (entry.echo is None, entry.echo or 0))

        manifest = merge_by_dimensionality(phase_files, mag_files, output_prefix)

    header_file = save_sepia_header_from_bids(manifest[0].magnitude, [entry.name for entry in json_files], output_prefix)
    logger.log(LogLevel.INFO.value, f"SEPIA header saved to {header_file}")
    return manifest

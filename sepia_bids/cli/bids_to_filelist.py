#!/usr/bin/env python3

import argparse
import datetime
import json
import os
import sys

from sepia_bids.scripts.bids_filelist import convert
from sepia_bids.scripts.errors import SepiaBidsError
from sepia_bids.scripts.logger import LogLevel, make_logger, show_warning_summary
from sepia_bids.scripts.sepia_functions import get_output_dir, get_sepia_bids_version

def script_exit(exit_code=0):
    logger = make_logger()
    show_warning_summary(logger)
    logger.log(LogLevel.INFO.value, 'Finished')
    sys.exit(exit_code)

def write_manifest_json(manifest, path):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump([{'inputNIFTIList': entry.as_list()} for entry in manifest], f, indent=2)
    return path

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="sepia-bids: Reads a BIDS directory of GRE magnitude/phase NIfTI files into a SEPIA input file list",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        'input_dir',
        help='Input BIDS directory containing *part-mag*/*part-phase* NIfTI files and *part-mag* JSON sidecars; not searched recursively.'
    )

    parser.add_argument(
        'output_prefix',
        help='Full output basename, e.g. out/sub-01_. Merged NIfTI files and the SEPIA header are written as <output_prefix>part-mag.nii.gz etc.'
    )

    parser.add_argument(
        '--manifest_json',
        default=None,
        help='Also write the file list(s) to this JSON file.'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Print debug messages.'
    )

    args = parser.parse_args(argv)
    args.input_dir = os.path.abspath(args.input_dir)
    return args

def main(argv=None):
    args = parse_args(argv)

    output_dir = get_output_dir(args.output_prefix)
    os.makedirs(output_dir, exist_ok=True)

    logger = make_logger(
        logpath=os.path.join(output_dir, f"log_{str(datetime.datetime.now()).replace(':', '-').replace(' ', '_').replace('.', '')}.txt"),
        printlevel=LogLevel.DEBUG if args.debug else LogLevel.INFO,
        writelevel=LogLevel.DEBUG if args.debug else LogLevel.INFO,
        warnlevel=LogLevel.WARNING,
        errorlevel=LogLevel.ERROR
    )
    logger.log(LogLevel.INFO.value, f"Running sepia-bids {get_sepia_bids_version()}")
    logger.log(LogLevel.INFO.value, f"Command: {str.join(' ', sys.argv)}")
    logger.log(LogLevel.INFO.value, f"Python interpreter: {sys.executable}")

    if not os.path.isdir(args.input_dir):
        logger.log(LogLevel.ERROR.value, f"Input directory {args.input_dir} does not exist!")
        script_exit(1)

    try:
        manifest = convert(args.input_dir, args.output_prefix)
    except SepiaBidsError as e:
        logger.log(LogLevel.ERROR.value, str(e))
        script_exit(1)

    for v, entry in enumerate(manifest, start=1):
        logger.log(LogLevel.INFO.value, f"Volume {v}: phase={entry.phase}; magnitude={entry.magnitude}; header={entry.header}")

    if args.manifest_json:
        write_manifest_json(manifest, args.manifest_json)
        logger.log(LogLevel.INFO.value, f"File list written to {args.manifest_json}")

    script_exit()

if __name__ == "__main__":
    main()

import os
from setuptools import setup, find_packages

def read_version_from_config():
    setup_file_path = os.path.abspath(__file__)
    setup_dir = os.path.dirname(setup_file_path)
    config_path = os.path.join(setup_dir, 'docs', '_config.yml')
    REQUIRED_VERSION_TYPE = os.environ.get('REQUIRED_VERSION_TYPE') or 'DEPLOY_PACKAGE_VERSION'
    with open(config_path, 'r') as f:
        for line in f:
            if line.startswith(REQUIRED_VERSION_TYPE):
                return line.split(":")[1].strip()

    raise ValueError('sepia-bids version not found in docs/_config.yml!')

setup(
    name='sepia-bids',
    long_description="sepia-bids reads BIDS multi-echo GRE magnitude/phase NIfTI data into SEPIA input file lists",
    version=read_version_from_config(),
    packages=find_packages(include=['sepia_bids', 'sepia_bids.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.24',
        'nibabel>=5.2.1',
        'scipy>=1.10.1',
        'psutil>=6.1.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-mock>=3.10.0',
            'pytest-cov>=4.0.0',
            'pytest-xdist>=3.0.0',
            'black>=22.0.0',
            'isort>=5.10.0',
            'flake8>=5.0.0',
        ],
        'test': [
            'pytest>=7.0.0',
            'pytest-mock>=3.10.0',
            'pytest-cov>=4.0.0',
            'pytest-xdist>=3.0.0',
        ]
    },
    entry_points={
        'console_scripts': [
            'sepia-bids = sepia_bids.cli.bids_to_filelist:main',
        ],
    },
)

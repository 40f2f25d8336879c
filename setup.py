#! /usr/bin/env python
"""
setup.py for h2ordermd
"""

# System imports
import io
from os import path
from setuptools import setup, find_packages

PACKAGES = find_packages(exclude=['tests*'])

# versioning

THIS_DIRECTORY = path.abspath(path.dirname(__file__))
ABOUT = {}
with io.open(path.join(THIS_DIRECTORY, 'h2orderMD', 'version.py')) as f:
    exec(f.read(), ABOUT)

ISRELEASED = False
VERSION = ABOUT['__version__']

with io.open(path.join(THIS_DIRECTORY, 'README.md')) as f:
    LONG_DESCRIPTION = f.read()

REQUIREMENTS = ['numpy', 'scipy>=1.9.3', 'tqdm', 'MDanalysis>=2.4.2']

INFO = {
        'name': 'h2ordermd',
        'description': 'Slice-resolved water orientation order parameters '
                       'and dipole profiles from molecular dynamics trajectories.',
        'packages': PACKAGES,
        'include_package_data': True,
        'install_requires': REQUIREMENTS,
        'extras_require': {'test': ['pytest']},
        'entry_points': {'console_scripts': ['h2order = h2orderMD.cli:main']},
        'python_requires': '>=3.10',
        'version': VERSION,
        'license': 'MIT',
        'long_description': LONG_DESCRIPTION,
        'long_description_content_type': 'text/markdown',
        'classifiers': ['Development Status :: 4 - Beta',
                        'Intended Audience :: Science/Research',
                        'License :: OSI Approved :: MIT License',
                        'Natural Language :: English',
                        'Operating System :: OS Independent',
                        'Programming Language :: Python :: 3.10',
                        'Topic :: Scientific/Engineering',
                        'Topic :: Scientific/Engineering :: Chemistry',
                        'Topic :: Scientific/Engineering :: Physics']
        }

####################################################################
# this is where setup starts
####################################################################


def setup_package():
    """
    Runs package setup
    """
    setup(**INFO)


if __name__ == '__main__':
    setup_package()

"""
Setuptools build script for the episodic-tuner package.

Reads runtime and development requirements from the requirements files next
to this script and the version from ``episodic_tuner/core/constants.py``
without importing the package, so an isolated build never needs the
runtime dependencies installed.
"""

import pathlib
import re

import setuptools

HERE = pathlib.Path(__file__).parent
PACKAGE_DIR = HERE / 'episodic_tuner'
VERSION_PATH = PACKAGE_DIR / 'core' / 'constants.py'
README_PATH = HERE / 'README.md'
REQUIREMENTS_PATH = HERE / 'requirements.txt'
DEV_REQUIREMENTS_PATH = HERE / 'requirements-dev.txt'

PACKAGE_NAME = 'episodic-tuner'
AUTHOR = 'episodic_tuner Development Team'
DESCRIPTION = 'Episodic tabular Q-learning engine for tuning simulated vehicles'
LICENSE = 'MIT'

KEYWORDS = [
    'reinforcement learning', 'q-learning', 'controller tuning', 'gymnasium',
    'simulation', 'autopilot', 'path optimisation',
]

CLASSIFIERS = [
    'Development Status :: 3 - Alpha',
    'Intended Audience :: Science/Research',
    'Topic :: Scientific/Engineering :: Artificial Intelligence',
    'License :: OSI Approved :: MIT License',
    'Programming Language :: Python :: 3',
    'Programming Language :: Python :: 3.10',
    'Programming Language :: Python :: 3.11',
    'Programming Language :: Python :: 3.12',
    'Programming Language :: Python :: 3.13',
]

CORE_REQUIREMENTS = [
    'gymnasium>=0.29.0',
    'numpy>=1.24.0',
    'pydantic>=2.0.0',
    'loguru>=0.7.0',
    'matplotlib>=3.7.0',
    'typing_extensions>=4.5.0',
]

TEST_REQUIREMENTS = [
    'pytest>=8.0.0',
    'hypothesis>=6.0.0',
]


def read_requirements(requirements_file: pathlib.Path) -> list:
    """
    Read requirement specifiers from a requirements file.

    Comment and blank lines are dropped, as are inline comments. A missing
    file yields an empty list.
    """
    if not requirements_file.exists():
        return []

    requirements = []
    for line in requirements_file.read_text(encoding='utf-8').splitlines():
        line = line.split('#', 1)[0].strip()
        if line and not line.startswith('-'):
            requirements.append(line)
    return requirements


def read_long_description() -> str:
    if README_PATH.exists():
        return README_PATH.read_text(encoding='utf-8')
    return DESCRIPTION


def get_version_from_package() -> str:
    """
    Extract ``PACKAGE_VERSION`` from the constants module by pattern match.

    Raises:
        RuntimeError: If the version assignment cannot be found
    """
    match = re.search(
        r'^PACKAGE_VERSION\s*=\s*[\'"]([^\'"]+)[\'"]',
        VERSION_PATH.read_text(encoding='utf-8'),
        re.MULTILINE,
    )
    if not match:
        raise RuntimeError(f'PACKAGE_VERSION not found in {VERSION_PATH}')
    return match.group(1)


def setup_package():
    version = get_version_from_package()

    install_requires = read_requirements(REQUIREMENTS_PATH) or CORE_REQUIREMENTS
    dev_requirements = read_requirements(DEV_REQUIREMENTS_PATH) or TEST_REQUIREMENTS

    setup_config = {
        'name': PACKAGE_NAME,
        'version': version,
        'description': DESCRIPTION,
        'long_description': read_long_description(),
        'long_description_content_type': 'text/markdown',
        'author': AUTHOR,
        'license': LICENSE,
        'keywords': KEYWORDS,
        'classifiers': CLASSIFIERS,
        'packages': setuptools.find_packages(include=['episodic_tuner', 'episodic_tuner.*']),
        'install_requires': install_requires,
        'extras_require': {
            'dev': dev_requirements,
            'test': TEST_REQUIREMENTS,
        },
        'entry_points': {
            'console_scripts': [
                'episodic-tuner=episodic_tuner.cli.train:main',
            ]
        },
        'python_requires': '>=3.10',
        'zip_safe': False,
    }

    setuptools.setup(**setup_config)


if __name__ == '__main__':
    setup_package()

"""
Setup script for activity-sense
"""

from setuptools import setup, find_packages
import sys
from pathlib import Path

here = Path(__file__).parent.absolute()


# Read version from activity_sense/__init__.py
def get_version():
    """Get version from activity_sense/__init__.py"""
    version_file = here / "activity_sense" / "__init__.py"
    if version_file.exists():
        with open(version_file, 'r') as f:
            for line in f:
                if line.startswith('__version__'):
                    return line.split('=')[1].strip().strip('"').strip("'")
    return "0.0.0"


# Read long description from README
def get_long_description():
    """Get long description from README.md"""
    readme_file = here / "README.md"
    if readme_file.exists():
        with open(readme_file, 'r', encoding='utf-8') as f:
            return f.read()
    return "Streaming human activity recognition from smartphone motion sensors"


def get_requirements():
    """Get runtime requirements"""
    return [
        "numpy>=1.24.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "click>=8.1.0",
        "httpx>=0.25.0",
        "websockets>=12.0",
    ]


# Development requirements
def get_dev_requirements():
    """Get development requirements"""
    return [
        "pytest>=7.4.0",
        "pytest-asyncio>=0.21.0",
        "pytest-cov>=4.1.0",
        "pytest-mock>=3.12.0",
    ]


# Check Python version
if sys.version_info < (3, 9):
    sys.exit("Python 3.9 or higher is required")

setup(
    name="activity-sense",
    version=get_version(),
    description="Streaming human activity recognition from smartphone motion sensors",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",

    packages=find_packages(include=["activity_sense", "activity_sense.*"]),
    include_package_data=True,

    python_requires=">=3.9",
    install_requires=get_requirements(),
    extras_require={
        "dev": get_dev_requirements(),
        "test": get_dev_requirements(),
    },

    entry_points={
        "console_scripts": [
            "activity-sense=activity_sense.cli:cli",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: System :: Networking",
    ],

    keywords=[
        "activity recognition",
        "har",
        "accelerometer",
        "gyroscope",
        "streaming",
        "gemini",
    ],

    zip_safe=False,
)

"""
Setup script for fsfault.
Allows installation via: pip install -e .
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README for the long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding='utf-8') if readme_file.exists() else ""

setup(
    name="fsfault",
    version="0.1.0",
    description="Configurable fault injection for filesystem operations",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.7",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["fsfault", "doctor"],
    include_package_data=True,
    install_requires=[
        "colorama>=0.4.4",
        "psutil>=5.8.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        'console_scripts': [
            'fsfault=fsfault:main',
            'fsfault-doctor=doctor:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)

#!/usr/bin/env python3
"""
Setup script for the robowflex and tmpack packages
"""

from setuptools import setup, find_packages

setup(
    name="robowflex",
    version="1.0.0",
    description="Convenience layer for motion planning with task-and-motion planning sequencing",
    author="Robot Control Team",
    packages=find_packages(include=["robowflex", "robowflex.*", "tmpack", "tmpack.*"]),
    package_data={"robowflex": ["config/*.yaml"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "PyYAML>=5.4",
        "h5py>=3.0",
    ],
    extras_require={
        "ompl": ["ompl>=1.6"],
        "test": ["pytest>=7.0"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)

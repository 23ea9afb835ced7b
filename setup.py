from setuptools import setup, find_packages

setup(
    name="kdgeo",
    version="1.0.0",
    description="KDGeo - Weighted radius-bounded nearest neighbor search with a K-dimensional tree",
    author="Dess4ever",
    packages=find_packages(include=["kdgeo", "kdgeo.*"]),
    install_requires=[
        "numpy>=1.24.0",
        "joblib>=1.2.0",
        "pyyaml>=6.0",
        "tqdm>=4.64.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "kdgeo=kdgeo.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)

from setuptools import setup, find_packages

setup(
    name="improc",
    version="1.0.0",
    description="Image filtering, corner detection and ORB descriptor matching on pixel buffers",
    author="improc",
    packages=find_packages(include=["improc", "improc.*"]),
    install_requires=[
        "opencv-python>=4.8.0",
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "scikit-image>=0.22.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
)

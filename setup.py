"""
Setup configuration for cryst-pbm package.
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="cryst-pbm",
    version="0.1.0",
    author="Research Team",
    description="Population balance modelling of crystallization with growth and nucleation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.26.0",
        "scipy>=1.13.0,<2.0.0",
        "matplotlib>=3.8.0,<4.0.0",
        "tqdm>=4.66.0,<5.0.0",
        "PyYAML>=6.0.0,<7.0.0",
        "sympy>=1.12",
    ],
    extras_require={
        "dev": ["pytest>=7.0.0", "pytest-cov>=4.0.0"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Chemistry",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)

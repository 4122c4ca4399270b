"""Setup script for call-centre-log."""

from setuptools import setup, find_packages

setup(
    name="call-centre-log",
    version="0.1.0",
    description="Synthetic call-centre event log generator for operations analytics teaching",
    author="Call Centre Log",
    license="MIT",
    packages=find_packages(include=["callcentre", "callcentre.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "simpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "generate-call-log=callcentre.cli:main",
        ],
    },
)

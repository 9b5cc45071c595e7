from setuptools import setup, find_packages

setup(
    name="lazymzml",
    version="0.1.0",
    description="Lazy random access to indexed mzML mass spectrometry files",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "lxml",
        "tqdm",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "lazymzml=lazymzml.__main__:main",
        ],
    },
)

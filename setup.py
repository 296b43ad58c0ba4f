from setuptools import setup, find_packages

setup(
    name="stegscan",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pillow>=10.0.0",
        "numpy>=1.24.0",
        "tqdm>=4.66.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    python_requires=">=3.8",
)

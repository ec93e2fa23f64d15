import os

from setuptools import setup


def get_version():
    path = os.path.join(os.path.dirname(__file__), "polystat", "core.py")
    with open(path) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Unable to find the version string")


def main():
    setup(
        name="polystat",
        version=get_version(),
        description=(
            "Population genetics summary statistics and permutation tests "
            "on grouped sequence and genotype data"
        ),
        license="GPL-3.0-or-later",
        packages=["polystat"],
        python_requires=">=3.8",
        install_requires=["numpy", "tskit"],
        extras_require={"test": ["pytest", "msprime"]},
        classifiers=[
            "Programming Language :: Python :: 3",
            "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
            "Topic :: Scientific/Engineering :: Bio-Informatics",
        ],
    )


if __name__ == "__main__":
    main()

from pathlib import Path

from setuptools import find_packages, setup


def read_requirements(file):
    requirements = []
    if Path(file).exists():
        requirements = [
            line
            for line in open(file).read().strip().split("\n")
            if line and not line.startswith("#")
        ]
    return requirements


install_requires = read_requirements("requirements.txt")
dev_requires = read_requirements("requirements-dev.txt")

setup(
    # Package metadata
    name="classloader",
    description="Load classes on their first method call.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    # Versioning
    version="1.0.0",
    # Package setup
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"classloader.logging": ["logging.yml"]},
    include_package_data=True,
    # Requirements
    python_requires=">=3.10",
    install_requires=install_requires,
    extras_require={
        "dev": dev_requires,
    },
    classifiers=[
        "Natural Language :: English",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries",
    ],
)

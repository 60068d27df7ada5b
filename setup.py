#!/usr/bin/env python3
"""Setup script for acclink - worker to accelerator manager channel."""

from setuptools import setup, find_packages
import os

HERE = os.path.dirname(os.path.abspath(__file__))


# Read requirements
def read_requirements(filename):
    """Read requirements from file."""
    with open(os.path.join(HERE, filename)) as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


# Read README for long description
def read_readme():
    """Read README.md for long description."""
    readme_path = os.path.join(HERE, 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, encoding='utf-8') as f:
            return f.read()
    return ""


setup(
    name="acclink",
    version="0.1.0",
    description="Length-prefixed protobuf channel between data workers and an accelerator manager",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    license="MIT",

    # Package discovery
    packages=find_packages(exclude=['tests', 'tests.*', 'examples', 'tools']),

    # Ship the schema for peers that generate their own bindings
    package_data={
        'acclink.protocol': ['*.proto'],
    },

    # Dependencies
    install_requires=read_requirements('requirements.txt'),

    extras_require={
        'dev': read_requirements('requirements-dev.txt') if os.path.exists(os.path.join(HERE, 'requirements-dev.txt')) else [],
    },

    # Python version requirement
    python_requires='>=3.8',

    # Classifiers
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: System :: Distributed Computing',
        'Topic :: System :: Networking',
    ],
)

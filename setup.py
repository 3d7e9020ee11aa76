#!/usr/bin/env python
# encoding: utf-8
# pip install wheel
# python3 setup.py sdist bdist_wheel
from setuptools import setup

setup(
    name="tmxregion",
    version="1.0",
    description="Loads tiled tmx maps and answers region queries for partial rendering",
    author="bitcraft",
    author_email="leif.theden@gmail.com",
    packages=["tmxregion"],
    license="LGPLv3",
    python_requires=">=3.7",
    extras_require={
        "pygame": ["pygame>=2.0.0"],
        "pygame-ce": ["pygame-ce>=2.1.3"],
        "test": ["pygame>=2.0.0"],
    },
    classifiers=[
        "Intended Audience :: Developers",
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Games/Entertainment",
        "Topic :: Multimedia :: Graphics",
        "Topic :: Software Development :: Libraries :: pygame",
    ],
)

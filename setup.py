#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    setup.py
    ~~~~~~~~
    Shelfshare, peer-to-peer book lending and free-to-good-home giveaways

    :copyright: (c) 2025 by AUTHORS.
    :license: see LICENSE for more details.
"""

import os
import re
import codecs
from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    return codecs.open(os.path.join(here, *parts), 'r').read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")

setup(
    name='shelfshare',
    version=find_version("shelfshare", "__init__.py"),
    description='Shelfshare, lend books to friends and give them away to good homes',
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
    ],
    packages=find_packages(exclude=['tests', 'tests.*', 'scripts']),
    platforms='any',
    license='LICENSE',
    python_requires='>=3.9',
    install_requires=[
        'fastapi',
        'uvicorn',
        'sqlalchemy>=2.0',
        'pydantic>=2',
        'itsdangerous',
        'psycopg2-binary',
        'python-dotenv',
        ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
            ],
        },
    include_package_data=True
    )

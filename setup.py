# -*- coding: utf-8 -*-

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="durablefunctions-client",
    version="0.1.0a1",
    author="Chris Gillum",
    author_email="cgillum@microsoft.com",
    description="Durable Functions orchestration management client for Python",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/microsoft/durabletask-python",
    packages=setuptools.find_packages(include=["durablefunctions", "durablefunctions.*"]),
    install_requires=[
        "azure-functions",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
)

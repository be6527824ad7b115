#!/usr/bin/env python3
from setuptools import find_packages, setup

setup(
    name="personnel-page",
    packages=find_packages(include=["personnel_page", "personnel_page.*"]),
    license="MIT",
    description="Personnel roster web service with dynamic, shareable record filters",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Framework :: Flask",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Intended Audience :: Developers",
    ],
    python_requires=">=3.10",
    install_requires=open("requirements/requirements.in").read().splitlines(),
    extras_require={
        "dev": open("requirements/dev_requirements.in").read().splitlines(),
        "test": open("requirements/test_requirements.in").read().splitlines(),
    },
    include_package_data=True,
)

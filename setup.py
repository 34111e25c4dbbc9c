#!/usr/bin/env python

from setuptools import setup

setup(
    name="s3fileserver",
    version="1.2.0",
    description="Browse, download and upload files in an S3 bucket through a small HTTP gateway",
    author="S3 FileServer contributors",
    packages=["s3fileserver", "s3fileserver.api", "s3fileserver.objectstorage"],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.10",
    keywords=["API", "S3", "files"],
    classifiers=[
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    install_requires=[
        "fastapi[all]",
        "aiobotocore",
        "types-aiobotocore-s3",
        "anyio",
        "redis>=5",
        "python-multipart>=0.0.13",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "httpx",
            "moto[server]",
            "mypy",
            "flake8",
        ]
    },
    entry_points={"console_scripts": ["s3fileserver = s3fileserver.__main__:main"]},
)

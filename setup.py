# coding=utf-8

from setuptools import find_packages, setup

with open("README.md", "r") as fp:
    long_description = fp.read()

packages = find_packages("src")

setup(
    name="paas_apm",
    version="1.0.0",
    description="Buildpack hooks that provision APM agents on PaaS deployments",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    zip_safe=False,
    python_requires=">=3.9, <4",
    packages=packages,
    package_dir={"": "src"},
    entry_points={
        "console_scripts": ["paas-apm-hook = paas_apm.core.cli.hook:main"]
    },
    install_requires=[
        "urllib3>=2.2,<3",
        "certifi",
    ],
    extras_require={
        "appdynamics": ["appdynamics"],
        "test": ["pytest", "mocket"],
    },
    keywords=["apm", "performance monitoring", "buildpack", "dynatrace"],
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)

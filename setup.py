"""
Setup configuration for MDB_DASHBOARD package.
"""

from pathlib import Path

from setuptools import find_packages, setup

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")

setup(
    name="mdb-dashboard",
    version="0.1.0",
    description="MongoDB dashboard backend: pooled client registry and query gateway",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "motor>=3.0.0",
        "pymongo>=4.3.0",
        "fastapi>=0.100.0",
        "pydantic>=2.0.0",
        "click>=8.0.0",  # CLI
        "uvicorn>=0.23.0",  # Serves the API from the CLI
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.24.0",  # Required by fastapi.testclient
            "testcontainers[mongodb]>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mdb-dashboard=mdb_dashboard.cli.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ],
    keywords="mongodb dashboard admin fastapi motor",
    include_package_data=True,
)

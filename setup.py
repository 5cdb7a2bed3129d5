# ==============================================================================
# mcp-tester - Setup Configuration
# ==============================================================================
# This file configures the package for distribution and installation
# Usage: pip install -e .
#        or: pip install -e ".[dev]"
# ==============================================================================

from setuptools import setup, find_packages  # type: ignore
from pathlib import Path

# Get the project root directory
PROJECT_ROOT: Path = Path(__file__).resolve().parent


# Read long description from README
def read_file(filename: str) -> str:
    """
    Read file content safely.

    Args:
        filename: Path to file relative to project root

    Returns:
        File content as string, or empty string if file not found
    """
    try:
        with open(PROJECT_ROOT / filename, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return ""


# Read version from package __init__.py
def get_version() -> str:
    """
    Extract version from the package __init__.py.

    Returns:
        Version string in format X.Y.Z
    """
    version_file = PROJECT_ROOT / "src" / "mcp_tester" / "__init__.py"
    try:
        with open(version_file, "r", encoding="utf-8") as f:
            for line in f:
                if line.startswith("__version__"):
                    # Parse: __version__ = "1.0.0"
                    return line.split('"')[1]
    except FileNotFoundError:
        pass
    return "1.0.0"


setup(
    # ==================================================================
    # BASIC PROJECT METADATA
    # ==================================================================
    name="mcp-tester",
    version=get_version(),
    description="Conformance and performance test harness for MCP tool servers over stdio",
    long_description=read_file("README.md"),
    long_description_content_type="text/markdown",
    author="mcp-tester contributors",
    license="MIT",

    # ==================================================================
    # CLASSIFIERS
    # ==================================================================
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Quality Assurance",
        "Intended Audience :: Developers",
        "Environment :: Console",
        "Typing :: Typed",
    ],
    keywords=["mcp", "json-rpc", "testing", "benchmark", "conformance", "stdio"],

    # ==================================================================
    # PYTHON REQUIREMENTS
    # ==================================================================
    python_requires=">=3.9,<4.0",

    # ==================================================================
    # PACKAGE DISCOVERY
    # ==================================================================
    packages=find_packages(
        where="src",
        exclude=["tests", "tests.*"],
    ),
    package_dir={"": "src"},

    # ==================================================================
    # PACKAGE DATA
    # ==================================================================
    package_data={
        "mcp_tester": [
            "config/*.yaml",
        ],
    },
    include_package_data=True,

    # ==================================================================
    # DEPENDENCIES
    # ==================================================================
    install_requires=[
        "pydantic>=2.5.0,<3.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0.1",
    ],

    # ==================================================================
    # OPTIONAL DEPENDENCIES
    # ==================================================================
    extras_require={
        # Development and testing dependencies
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
        ],
    },

    # ==================================================================
    # ENTRY POINTS
    # ==================================================================
    entry_points={
        "console_scripts": [
            "mcp-tester=mcp_tester.__main__:main",
        ],
    },

    zip_safe=False,
)

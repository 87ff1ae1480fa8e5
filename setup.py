"""
Setup script for c_http_client.

This script handles the installation of the package.
"""

import sys
from setuptools import setup, find_packages


def get_long_description():
    """Get long description from README."""
    try:
        with open("README.md", "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return "Synchronous HTTP transport client on libcurl and h11"


def main():
    """Main setup function."""
    # Check Python version
    if sys.version_info < (3, 8):
        raise RuntimeError("Python 3.8 or higher is required")

    setup(
        name="c_http_client",
        version="0.1.0",
        description="Synchronous HTTP transport client on libcurl and h11",
        long_description=get_long_description(),
        long_description_content_type="text/markdown",
        author="Developer",
        author_email="dev@example.com",
        url="https://github.com/yourusername/c_http_client",
        packages=find_packages(where="src"),
        package_dir={"": "src"},
        python_requires=">=3.8",
        install_requires=[
            "h11>=0.14.0",
            "pycurl>=7.45.0",
            "typing-extensions>=4.0.0",
        ],
        extras_require={
            "dev": [
                "pytest>=7.0.0",
                "black>=22.0.0",
                "mypy>=1.0.0",
                "pre-commit>=2.20.0",
                "pytest-cov>=4.0.0",
            ],
            "test": [
                "pytest>=7.0.0",
                "pytest-cov>=4.0.0",
            ],
        },
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Developers",
            "License :: OSI Approved :: MIT License",
            "Operating System :: OS Independent",
            "Programming Language :: Python :: 3",
            "Programming Language :: Python :: 3.8",
            "Programming Language :: Python :: 3.9",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.12",
            "Topic :: Internet :: WWW/HTTP",
            "Topic :: Software Development :: Libraries :: Python Modules",
        ],
        keywords=["http", "client", "transport", "curl", "h11"],
        zip_safe=False,
        include_package_data=True,
    )


if __name__ == "__main__":
    main()

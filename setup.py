"""
Setup configuration for the mailbrief summarization service.

Usage:
    pip install -e .            # Editable/development install
    pip install -e .[test]      # With the test toolchain
"""
from setuptools import setup, find_packages
import os

# Read requirements from requirements.txt
def read_requirements():
    """Parse requirements.txt and return list of dependencies."""
    req_file = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    with open(req_file, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="mailbrief",
    version="1.0.0",
    description="Background AI summaries for mailbox messages with provider failover",
    python_requires=">=3.10",

    # Package discovery
    packages=find_packages(
        where=".",
        exclude=["tests*", "*.tests", "*.tests.*", "tests.*"]
    ),

    # Dependencies from requirements.txt
    install_requires=read_requirements(),
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
        ],
    },

    entry_points={
        "console_scripts": [
            "mailbrief=mailbrief.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    zip_safe=False,
)

"""
setup.py

Packaging metadata and CLI entry point for keyword-insight.

Version: 0.1.0 - LLM access layer with response caching, request batching,
model selection and strict JSON enforcement, plus the analyze, research and
stats subcommands.
"""
from setuptools import setup, find_packages

setup(
    name="keyword-insight",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "pydantic>=2.0",
        "python-dotenv",
        "pyyaml",
        "requests",
        "tqdm",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "keyword-insight=cli:cli",
        ],
    },
    python_requires=">=3.8",
)

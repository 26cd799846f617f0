"""Setup configuration for Resilient AI SDK."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="resilient-ai-sdk",
    version="0.1.0",
    author="Resilient AI Team",
    description="Fault-tolerant, budgeted and monitored AI text generation over OpenAI-compatible providers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["resilient_ai", "resilient_ai.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "openai>=1.0.0",
        "httpx>=0.24.0",
        "python-dotenv>=1.0.0",
        "opentelemetry-api>=1.23.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "resilient-ai=resilient_ai.cli:main",
        ],
    },
)

#!/usr/bin/env python3
"""
Setup script for the iTECHS Learning Platform API

Install with:
    pip install -e .

Or with the test tooling:
    pip install -e ".[test]"
"""

from setuptools import setup, find_namespace_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

# API dependencies
api_requirements = [
    "fastapi>=0.110.0",
    "uvicorn[standard]>=0.27.0",
    "sqlalchemy[asyncio]>=2.0.25",
    "aiosqlite>=0.19.0",
    "asyncpg>=0.29.0",
    "pydantic[email]>=2.6.0",
    "pydantic-settings>=2.1.0",
    "python-jose[cryptography]>=3.3.0",
    "bcrypt>=4.1.2",
    "slowapi>=0.1.9",
    "redis>=5.0.1",
    "aiosmtplib>=3.0.1",
]

test_requirements = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.23.0",
    "httpx>=0.26.0",
    "faker>=22.0.0",
]

setup(
    name="itechs-learning-platform",
    version="1.0.0",
    description="iTECHS Learning Platform - role-based exam and learning API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="iTECHS Team",
    license="MIT",
    packages=find_namespace_packages(include=["app", "app.*"]),
    python_requires=">=3.9",
    install_requires=api_requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements + [
            "black>=24.1.0",
            "isort>=5.13.0",
            "mypy>=1.8.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
    ],
    keywords="fastapi education exams jwt otp",
)

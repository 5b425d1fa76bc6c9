"""
OrgTree Access Core

Organization roles, access evaluation, ownership transfer workflow and
CSRF protection for the OrgTree service.
"""

from setuptools import setup, find_packages

setup(
    name="orgtree-access-core",
    version="1.0.0",
    description="OrgTree Access Core - organization roles, ownership transfer and CSRF",
    author="OrgTree",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        # Web framework
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",

        # Database (PostgreSQL in production, SQLite locally)
        "sqlalchemy[asyncio]>=2.0.23",
        "asyncpg>=0.29.0",
        "aiosqlite>=0.19.0",

        # Session tokens
        "python-jose[cryptography]>=3.3.0",

        # Monitoring and observability
        "sentry-sdk[fastapi]>=1.39.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "License :: Other/Proprietary License",
    ],
)

from setuptools import setup, find_packages

setup(
    name="educentral-backend",
    version="0.1.0",
    packages=find_packages(exclude=["educentral.tests", "educentral.tests.*"]),
    package_data={"educentral": ["alembic/*.py", "alembic/script.py.mako", "alembic/versions/*.py"]},
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        "asyncpg>=0.29.0",
        "alembic>=1.12.0",
        "python-dotenv>=1.0.0",
        "python-multipart>=0.0.9",
        "redis>=5.0.1",
        "PyYAML>=6.0",
        "PyJWT>=2.8.0",
        "aiohttp>=3.9.0",
        "openai>=1.12.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
        ],
    },
    python_requires=">=3.9",
)

from setuptools import setup, find_packages

setup(
    name="dao-e2e",
    version="0.1.0",
    description="Test orchestration and reporting for the governance e2e browser suite",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.25.0",
        "python-dotenv>=1.0.0",
        "structlog>=23.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dao-e2e=dao_e2e.cli:main",
        ],
    },
)

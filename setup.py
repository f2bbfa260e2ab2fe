# setup.py
from setuptools import setup, find_packages

setup(
    name="access-scout",
    version="0.3.0",
    description="Accessibility audit crawler AccessScout (WCAG / BITV / EN 301 549)",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"access_scout.norms": ["*.yaml"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=5.0",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "access-scout=access_scout.cli:main",
        ],
    },
    python_requires=">=3.11",
)

from setuptools import setup, find_packages

setup(
    name="gridist",
    version="0.3.0",
    packages=find_packages(include=["gridist", "gridist.*"]),
    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "pandas>=1.4.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "tests": ["pytest>=7.0"],
    },
    author="gridist Team",
    description="Online grid pathfinding with incremental search and belief-derived costs",
    python_requires=">=3.8",
)

"""
PlanterPlan setup.py — Package configuration.
"""

from setuptools import find_packages, setup

setup(
    name="planterplan",
    version="0.1.0",
    description="PlanterPlan — task hierarchy, ordering and schedule cascade core",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.11",
    install_requires=[
        "sqlalchemy>=2.0",
        "pydantic>=2.5",
        "networkx>=3.2",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
)

"""Setup script for nearby_notifier package."""

from setuptools import setup, find_packages

setup(
    name="nearby-notifier",
    version="0.1.0",
    description="Walks waypoints on a game map and notifies about nearby wild sightings",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nearby-notifier=nearby_notifier.main:main",
        ],
    },
)

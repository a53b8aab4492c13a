from setuptools import setup, find_packages

setup(
    name="MCSim",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "scipy>=1.11",
    ],
    extras_require={
        "progress": ["tqdm"],
        "parallel": ["joblib"],
        "test": ["pytest", "joblib", "tqdm"],
    },
    description="Monte Carlo simulation lessons for statistical inference",
)

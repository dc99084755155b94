from setuptools import setup, find_packages

setup(
    name="cluster-classifier",
    version="0.1.0",
    description="Constraint-based classification and label arbitration for Kubernetes clusters",
    author="Matteo Santonocito",
    author_email="1000069999@studium.unict.it",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "kubernetes>=28.0.0",
        "pyyaml>=6.0",
        "prometheus-client>=0.19.0",
        "loguru>=0.7.0",
        "semver>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },
)

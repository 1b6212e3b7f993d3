from setuptools import setup, find_packages

setup(
    name="alerta-rag",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "requests",
        "pyyaml",
        "tqdm>=4.60",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "alerta-rag=alerta_rag.cli:main",
        ],
    },
    description="Semantic retrieval of business rules for pull-request risk scoring.",
)

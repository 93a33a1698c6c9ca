from setuptools import setup, find_packages

setup(
    name="autoflow",
    version="1.0.0",
    description="Node graph autonomous routine compiler for FTC robots",
    packages=find_packages(include=["autoflow", "autoflow.*"]),
    py_modules=["main", "doctor"],
    install_requires=[
        "pygame>=2.1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
        "dev": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "autoflow=main:main",
            "autoflow-doctor=doctor:main",
        ],
    },
    python_requires=">=3.8",
)

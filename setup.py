from setuptools import setup, find_namespace_packages

setup(
    name="BioSim",
    version="0.1",
    packages=find_namespace_packages(where="src", include=["biosim*"]),
    package_dir={"": "src"},
    description="Predator-prey population dynamics on a terrain grid, simulated year by year from BioSim input files.",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "biosim=biosim.ecology.run_simulation:main",
        ],
    },
)

import setuptools


setuptools.setup(
    name="diispy",
    version="0.1.0",
    description="DIIS extrapolation for self-consistent field iterations",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src"),
    install_requires=[
        "torch",
        "numpy",
        "pyyaml",
        "psutil",
    ],
    extras_require={"test": ["pytest"]},
)

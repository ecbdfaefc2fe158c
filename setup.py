from setuptools import setup, find_packages

setup(
    name="pspline",
    version="0.0.1",
    description="B-spline bases and penalized spline (P-spline) smoothing",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy",
        "scikit-learn",
    ],
    extras_require={
        "test": ["pytest"],
        "docs": ["sphinx", "myst_parser"],
    },
)

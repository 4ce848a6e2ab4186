from setuptools import setup, find_packages

setup(
    name="congregate",
    version="0.0.1",
    author="Elder Research, Inc.",
    description="County COVID-19 case rates vs. religious adherence.",
    package_dir={"": "src/python/pkg"},
    packages=find_packages(where="src/python/pkg"),
    install_requires=[
        "census",
        "matplotlib",
        "numpy",
        "pandas",
        "plotly",
        "requests",
        "scipy",
        "seaborn",
    ],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)

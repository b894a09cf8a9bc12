# hntiming/setup.py
from setuptools import find_packages, setup

setup(
    name="hntiming",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"hntiming.analysis.model_fitting": ["stan/*.stan"]},
    include_package_data=True,
    install_requires=[
        # Core Data Science
        "numpy>=1.21.3",
        "pandas>=1.3.0",
        "scipy>=1.7.0",
        "pyarrow>=10.0.0",
        # Bayesian inference
        "cmdstanpy>=1.2.0",
        "arviz>=0.17.0,<1.0",
        # Plotting
        "matplotlib>=3.4.3",
        "seaborn>=0.11.2",
        "tueplots>=0.0.4",
        # Schema validation / configuration
        "pydantic>=2.0.0",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.2.5",
            "pytest-cov>=3.0.0",
        ],
        "dev": [
            "black>=22.0.0",
            "isort>=5.10.0",
            "pylint>=2.15.0",
            "pytest>=6.2.5",
            "pytest-cov>=3.0.0",
            "jupyter>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hntiming-fit=hntiming.analysis.model_fitting.cli:main",
        ],
    },
    python_requires=">=3.9,<3.14",
    author="HMD",
    description="Bayesian estimates of the best time to post on HackerNews",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
)

from setuptools import setup, find_packages

setup(
    name="pllsim",
    version="0.1.0",
    description="Discrete-event simulation of a PMU programming a PLL over a register bus",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=[
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["pllsim=pllsim.__main__:main"],
    },
)

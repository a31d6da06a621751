from setuptools import setup, find_packages

setup(
    name="ibc-deploy",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "cli-core-yo>=1.0,<1.2",
        "pydantic>=2",
        "PyYAML",
        "rich",
        "typer",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ibc-deploy=ibc_deploy.cli:main",
        ],
    },
)

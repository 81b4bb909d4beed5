from setuptools import setup, find_packages

setup(
    name="nsecwalk",
    version="0.1.0",
    description="Enumeração de zonas DNSSEC via NSEC walking",
    author="Daniel Silva",
    python_requires=">=3.8",
    packages=find_packages(include=["core", "core.*", "utils", "utils.*"]),
    py_modules=["cli", "config"],
    include_package_data=True,
    install_requires=[
        "dnspython>=2.4.2",
        "typer>=0.9.0",
        "rich>=14.0.0",
        "typing-extensions>=4.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nsecwalk=cli:app",
        ]
    },
)

from pathlib import Path

from setuptools import find_packages, setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.rst").read_text()

setup(
    name="token_ioc",
    version="0.1.0",
    license="MIT",
    description="Token based dependency resolution with tag-conditional bindings for Python 3.10 +",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    packages=find_packages(include=["token_ioc", "token_ioc.*"]),
    python_requires=">=3.10",
    install_requires=["the-utility-belt"],
    extras_require={
        "fastapi": ["fastapi"],
        "test": ["pytest", "assertive==0.1.0", "fastapi", "httpx"],
    },
    include_package_data=True,
    platforms="any",
    classifiers=[
        "Programming Language :: Python",
        "Development Status :: 4 - Beta",
        "Natural Language :: English",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Software Development :: Libraries :: Application Frameworks",
    ],
)

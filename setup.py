# This should be only one line. If it must be multi-line, indent the second
# line onwards to keep the PKG-INFO file format intact.
"""Keep small secret files encrypted with a local, passphrase-locked key.
"""

from setuptools import find_packages, setup

version = open("src/vlt/version.txt").read().strip()

setup(
    name="vlt",
    version=version,
    install_requires=[
        "PGPy>=0.6; python_version < '3.13'",
        "PGPy13; python_version >= '3.13'",
        # PGPy still references ciphers that newer releases dropped.
        "cryptography>=3.1,<45",
        "importlib_resources",
        "py", ],
    extras_require={
        "test": [
            "mock",
            "pytest",
            "pytest-coverage",
            "pytest-instafail",
            "pytest-timeout", ]},
    entry_points="""
        [console_scripts]
            vlt = vlt.main:main
    """,
    license="BSD (2-clause)",
    keywords="secrets encryption",
    classifiers="""\
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Programming Language :: Python :: 3 :: Only
"""[:-1].split("\n"),
    description=__doc__.strip(),
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"vlt": ["version.txt"]},
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.8")

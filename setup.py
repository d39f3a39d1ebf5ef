import io
import os
import re

from setuptools import find_packages, setup


with io.open("bhportal/__init__.py", "rt", encoding="utf8") as f:
    version = re.search(r"__version__ = \"(.*?)\"", f.read()).group(1)


def fpath(name):
    return os.path.join(os.path.dirname(__file__), name)


def read(fname):
    return open(fpath(fname)).read()


def desc():
    return read("README.rst")


setup(
    name="bhportal",
    version=version,
    license="BSD",
    description=(
        "Behavioral health portal: ASAM assessment and resident intake form wizards,"
        " with step validation, draft saving and a records API for BHP review."
    ),
    long_description=desc(),
    long_description_content_type="text/x-rst",
    packages=find_packages(exclude=["tests*"]),
    package_data={"bhportal": ["templates/wizard/*.html"]},
    include_package_data=True,
    zip_safe=False,
    platforms="any",
    install_requires=[
        "click>=8, <9",
        "Flask>=2, <4",
        "Flask-SQLAlchemy>=3, <4",
        "SQLAlchemy>=1.4, <3",
        "marshmallow>=3.18.0, <5",
        "python-dateutil>=2.3, <3",
        "requests>=2.25, <3",
        "werkzeug<4",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    classifiers=[
        "Environment :: Web Environment",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)

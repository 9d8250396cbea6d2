# setup.py
from setuptools import setup, find_packages

setup(
    name="theta",
    version="0.1.0",
    description="Macro expansion, symbol substitution and lexical let for a Hy-flavoured Lisp",
    packages=find_packages(include=["theta", "theta.*"]),
    python_requires=">=3.9",
    install_requires=[],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    zip_safe=False,
)

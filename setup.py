from setuptools import setup, find_packages

__package_name__ = "boolscape"
__description__ = "This package compiles Boolean and weighted-threshold regulatory network models and analyzes their attractor landscapes, deterministically and under noise."

__version__ = open("boolscape/_version.py", "rt").read().split('\'')[1]

setup(
      name = __package_name__,
      version = __version__,
      description = __description__,
      long_description = __description__,

      license = "MIT",

      packages = find_packages(include=["boolscape", "boolscape.*"]),

      python_requires = ">=3.10",

      classifiers = [
          "Programming Language :: Python :: 3",
      ],

      install_requires = [
          "numpy",
          "networkx",
          "scipy",
          "pyeda",
          "pandas"
      ],

      extras_require = {
          "test": ["pytest"],
          "docs": ["sphinx", "sphinx_rtd_theme"]
      }
)

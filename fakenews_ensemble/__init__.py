"""
Fake news classification from article metadata, with base models and
ensemble strategies built on scikit-learn.
"""

__version__ = "0.1.0"

# Configuration file for the Sphinx documentation builder.
project = 'tgcert'
copyright = '2026, tgcert'
author = 'tgcert'
release = '0.1.0'

extensions = ['sphinx.ext.autodoc']

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']

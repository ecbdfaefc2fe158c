import os
import sys
sys.path.insert(0, os.path.abspath('..'))

project = 'pspline'
copyright = '2024, the pspline developers'
author = 'the pspline developers'

extensions = [
    'myst_parser',
    'sphinx.ext.autodoc',
    'sphinx.ext.viewcode',
    'sphinx.ext.napoleon',
]

source_suffix = {'.md': 'markdown'}
root_doc = 'index'
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'alabaster'

import importlib.util
import os
import sys

# Put project root on sys.path so autoapi can resolve the package
sys.path.insert(0, os.path.abspath("../.."))

project = "timingsign"
author = "timingsign contributors"

extensions = [
    "autoapi.extension",
    "sphinx.ext.doctest",
    "sphinx.ext.napoleon",
    "myst_nb",
    "sphinx_copybutton",
]
templates_path = []
exclude_patterns = []

nb_execution_mode = "off"

# Book theme when installed, bundled alabaster otherwise
if importlib.util.find_spec("sphinx_book_theme") is not None:
    html_theme = "sphinx_book_theme"
    html_theme_options = {
        "path_to_docs": "docs/source",
        "use_repository_button": False,
    }
else:
    html_theme = "alabaster"
    html_theme_options = {}

myst_enable_extensions = [
    "deflist",
    "colon_fence",
]

master_doc = "index"

# ---------------------------------------------------------------------------
# sphinx-autoapi: API reference for the `timingsign` package
# ---------------------------------------------------------------------------
autoapi_type = "python"
autoapi_dirs = ["../../timingsign"]
autoapi_ignore = [
    "**/tests/**",
    "**/__pycache__/**",
]

autodoc_typehints = "description"

autoapi_options = [
    "members",
    "undoc-members",
    "show-inheritance",
    "show-module-summary",
]

autoapi_python_class_content = "both"

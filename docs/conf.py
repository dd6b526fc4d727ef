"""Sphinx configuration for the BSCM documentation.

Loads the package from ``src`` and documents its Google-style docstrings.
"""

from __future__ import annotations

import importlib.util
import sys
from datetime import date
from pathlib import Path
from typing import Final

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
SRC_PATH: Final[Path] = PROJECT_ROOT / "src"

sys.path.insert(0, str(SRC_PATH))

bscm_spec = importlib.util.spec_from_file_location("bscm", SRC_PATH / "bscm" / "__init__.py")
if bscm_spec is None or bscm_spec.loader is None:
    msg = f"Unable to locate bscm package at {SRC_PATH / 'bscm' / '__init__.py'}"
    raise ImportError(msg)
bscm = importlib.util.module_from_spec(bscm_spec)
sys.modules["bscm"] = bscm
bscm_spec.loader.exec_module(bscm)
CURRENT_YEAR: Final[int] = date.today().year

project = "BSCM"
copyright = f"{CURRENT_YEAR}, BSCM developers"  # pylint: disable=redefined-builtin

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.mathjax",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "myst_parser",
]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
}

templates_path = ["_templates"]
exclude_patterns: list[str] = ["_build", "Thumbs.db", ".DS_Store"]

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}

master_doc = "index"

napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True
napoleon_attr_annotations = True

autosummary_generate = True
autodoc_typehints = "description"
autodoc_member_order = "bysource"

myst_enable_extensions = [
    "colon_fence",
    "deflist",
    "dollarmath",
    "linkify",
]

html_theme = "sphinx_rtd_theme"
html_static_path = ["_static"]
html_show_sourcelink = True

html_theme_options = {
    "collapse_navigation": False,
    "navigation_depth": 3,
}

pygments_style = "default"

version = bscm.__version__
release = bscm.__version__

nitpicky = True

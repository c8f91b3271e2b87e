"""Packup asset pipeline.

This package turns an HTML entrypoint into a set of content-addressed output files.
Every stylesheet, SCSS stylesheet, script and image the page references locally is
read, bundled or compiled, renamed after a digest of its content, and the page is
rewritten to point at the new names.

The main entry point is the CLI module, which provides the `build` command for
writing the output to disk and the `serve` command for a development server that
rebuilds on change and reloads the browser.
"""

__all__ = ["__version__"]
__version__ = "0.2.2"

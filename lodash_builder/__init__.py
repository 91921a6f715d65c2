"""
Lo-Dash Builder — custom builds of the Lo-Dash utility library.

Takes a build command (function names, aliases, categories, bundles,
mode keywords, export and output directives) and produces a minimal,
dependency-complete rebuild of the library wrapped for the requested
module format.

Pipeline:
  Command Parser  →  Selection Resolver  →  Code Generator  →  Reducer  →  Delivery

Input:  command tokens (the same words accepted on the command line)
Output: one JavaScript module, written to a file or stdout
"""

__version__ = "0.1.0"

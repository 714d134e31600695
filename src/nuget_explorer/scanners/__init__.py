"""
Readers for the package references declared by .NET projects.
"""

from .project_reader import ProjectReader, read_packages, find_central_packages_props

__all__ = [
    "ProjectReader",
    "read_packages",
    "find_central_packages_props"
]

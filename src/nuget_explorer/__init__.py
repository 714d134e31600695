"""
NuGet Explorer

Batch analysis of NuGet package references against the configured package
feeds: available updates, known vulnerabilities, and license changes.
"""

__version__ = "0.1.0"
__author__ = "NuGet Explorer Team"
__description__ = "Update, vulnerability and license analysis for NuGet packages"

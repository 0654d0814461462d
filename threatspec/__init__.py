"""
ThreatSpec - threat modeling from annotated source code.

Extracts Mitigates/Exposes/Does/Sends/Tests annotations from source comments,
merges them with a static call graph and renders a coverage report and a
component risk diagram.
"""

__version__ = "1.0.0"

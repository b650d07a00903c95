"""
InfraFlow - natural-language infrastructure diagram compiler.

Turns prompts such as "3-tier web app with a WAF" into an InfraSpec
(typed nodes + directed connections) and keeps it consistent with a
curated knowledge graph of relationships, anti-patterns and failures.
"""

__version__ = "0.5.0"

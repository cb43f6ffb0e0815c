"""
Buildup - CI agent for uploading mobile builds to the Buildup testing service.
"""

__version__ = "2.4.1"

AGENT_NAME = "Buildup Agent"

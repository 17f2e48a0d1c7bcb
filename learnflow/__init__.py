"""
learnflow - agent execution and workflow orchestration for document learning packages.
"""

__version__ = "0.1.0"

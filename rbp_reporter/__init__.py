"""
RBP test reporters: grouped HTML reports and debugging prompts for test runs.
"""

__version__ = "0.1.0"

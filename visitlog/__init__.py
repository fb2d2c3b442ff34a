"""
Visit log: front-desk visitor and transporter entry/exit registration
"""

__version__ = "1.0.0"

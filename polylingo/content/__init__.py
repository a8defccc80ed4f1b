"""
Content Source Module

Clients for the sites whose content gets translated.
"""

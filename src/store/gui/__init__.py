"""
Companion Store GUI

PyQt6 window for browsing and managing apps.
"""

"""
Portfolio dashboard frontend package.

This module exposes the Streamlit application with a clear separation
between backend access and the browser-side session view (core) and
Streamlit utilities (utils).
"""

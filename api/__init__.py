"""
FastAPI RESTful API for the Cloud Library service.

This module provides a REST API for:
- Signing in and issuing bearer tokens
- Browsing book metadata and downloading book PDFs
- Uploading, updating and deleting books (administrators)
- Registering and managing users
"""

### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Core Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
VetPractice Core Package

FastAPI application that resolves each request to its practice's
tenant database and guards every operation with role-based access control.
"""

__version__ = "1.0.0"

"""
Autorización de operaciones destructivas mediante tokens de capacidad.
"""

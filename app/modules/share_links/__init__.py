"""
Enlaces compartidos de solo lectura para el visor.
"""

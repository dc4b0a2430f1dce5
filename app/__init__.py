"""
HST Contabilidad API
"""

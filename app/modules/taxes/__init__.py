"""
Desglose de IVA incluido en los montos.
"""

"""
Dashboard - HST Contabilidad

Una sola vista del libro (tarjetas de resumen, facturas por cobrar, facturas y
movimientos) que se renderiza editable para el operador o de solo lectura para
el visor compartido.
"""

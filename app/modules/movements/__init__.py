"""
Módulo de Movimientos - HST Contabilidad

Entradas y salidas de dinero del libro: ventas directas, cobros de facturas,
gastos y compras. Inmutables salvo eliminación.
"""

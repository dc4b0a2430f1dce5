"""
Módulo de Facturas - HST Contabilidad

- Facturas emitidas a clientes con su PDF en el storage
- Pagos parciales y totales contra cada factura
- Conciliación: pagado, saldo pendiente, estado y total por cobrar
- Autocompletado de clientes

Tablas principales:
- invoices: Facturas
- invoice_payments: Pagos de facturas
"""

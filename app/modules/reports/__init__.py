"""
Reports Module - HST Contabilidad

Reportes financieros calculados sobre el snapshot de lectura del libro
(movimientos, facturas y pagos). No crea tablas propias.

Funcionalidades principales:
- Resumen financiero del período (ingresos, gastos, balance, IVA, por cobrar)
- Estado de cuenta estructurado y su exportación PDF
- Exportación CSV de movimientos

Architecture Pattern: Service Layer
- routers/ -> Define FastAPI endpoints con validaciones
- services/ -> Agregación pura y lectura vía snapshot
- schemas/ -> Modelos Pydantic para requests y responses
- utils/ -> Utilidades para exportación CSV/PDF y formateo
"""

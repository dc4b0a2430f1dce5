"""
Almacenamiento de documentos PDF de facturas en MinIO.
"""

"""Contratos del Core (typing.Protocol).

Por qué:
- Los servicios dependen de `RequestDispatcher` y `KeyValueStorage`, no de httpx ni del disco.
- Los tests sustituyen cualquiera de los dos sin parches.
"""

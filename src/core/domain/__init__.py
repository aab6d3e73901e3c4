"""Modelos y tipos del dominio.

Por qué:
- Aquí viven las estructuras de datos puras (Pydantic v2 y dataclasses).
- El dominio no conoce httpx, la CLI ni el almacenamiento: solo conceptos del problema.
"""

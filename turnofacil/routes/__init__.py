"""
Routes package for the TurnoFácil API
Blueprints are imported lazily by turnofacil.register_blueprints
"""

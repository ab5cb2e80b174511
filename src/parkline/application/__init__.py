"""Application layer: use-case service, DTOs and commands"""

"""Infrastructure: configuration and in-process messaging"""

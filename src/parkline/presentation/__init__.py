"""Presentation: interactive console front-end"""

"""Audited mutation services"""

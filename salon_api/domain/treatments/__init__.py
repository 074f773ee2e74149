"""Treatments Domain - Web-visible treatment catalogue and categories"""

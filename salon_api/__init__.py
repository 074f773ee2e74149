"""Diva Salon booking API"""

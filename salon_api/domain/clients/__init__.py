"""Clients Domain - Salon customers, created directly or by the booking flow"""

"""Helpers shared across domains"""

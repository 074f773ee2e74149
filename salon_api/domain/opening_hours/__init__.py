"""Opening Hours Domain - Weekly wall-clock hours per tenant"""

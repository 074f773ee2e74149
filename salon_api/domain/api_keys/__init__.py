"""API Keys Domain - Issuance (admin), listing, verification and revocation"""

"""Business domains: availability, bookings, clients, treatments, API keys"""

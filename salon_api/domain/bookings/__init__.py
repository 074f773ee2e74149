"""
Bookings Domain

Public booking creation (client resolution, start-time conflict check,
confirmation email with compensating deletes) plus the tenant's booking
listings and the availability endpoint.
"""

"""
Availability Domain

Computes bookable slot start times for a treatment on a given day from the
tenant's opening hours and existing bookings. Exposed over HTTP by the
bookings router (``GET /bookings/availability``).
"""

from django.dispatch import Signal

# Sent for every booking notification with kwargs: event (str), payload (dict).
booking_event = Signal()

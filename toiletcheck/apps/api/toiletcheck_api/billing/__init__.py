"""Subscription billing through the Midtrans payment gateway."""

"""Boundary adapters: database, Vapi, Kestra, Google and Twilio clients."""

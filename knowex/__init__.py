"""
KnowEx onboarding and authentication services.

Orchestrates signup, community and technology onboarding, user and
admin login, and app-start routing on top of a Supabase project.
"""

__version__ = "0.1.0"

"""Coaching: prompts, program generation and chat."""

"""Verification and payout orchestration core for the Treegar banking client."""

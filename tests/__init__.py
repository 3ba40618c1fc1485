"""Test package for chatroom."""

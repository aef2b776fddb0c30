"""
Discord Trivia Bot package.
"""

"""
AI Agent package for knee angle estimation using Gemini API.
"""
from aclrehab.ai_agent.gemini_client import GeminiClient
from aclrehab.ai_agent.knee_angle_agent import KneeAngleAgent

__all__ = ['GeminiClient', 'KneeAngleAgent']

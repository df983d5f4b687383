"""Pydantic模式"""

"""Test suites for the lotkeeper parking engine"""

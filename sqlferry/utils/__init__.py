"""sqlferry utility helpers"""

"""sqlferry command line tools"""

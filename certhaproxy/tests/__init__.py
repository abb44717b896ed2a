"""certhaproxy tests"""

"""
Infrastructure
==============

Technical services shared by all bounded contexts (database engine and
sessions).
"""

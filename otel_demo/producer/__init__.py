"""
Producer API: accepts messages over HTTP and publishes them to the queue
"""

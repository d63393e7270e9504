"""
Dashboard data layer: cached reads and optimistic mutations over the business REST API.
"""

# Repositories package init
"""
Infinite Notepad Backend — Data Access Layer
==============================================

Row-level operations against the relational store. Note and media
repositories are *scoped*: they are built for one authenticated user by the
`get_current_user` dependency chain and every query they issue carries
`user_id = <that user>`. Route handlers never filter on ownership themselves.
"""

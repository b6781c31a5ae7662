USER_PK_ABBREV = 'user'

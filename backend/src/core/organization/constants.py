ORGANIZATION_PK_ABBREV = 'org'

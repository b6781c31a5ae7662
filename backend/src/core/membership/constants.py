MEMBERSHIP_PK_ABBREV = 'mbr'

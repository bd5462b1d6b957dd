MAX_KEY_LENGTH = 1024

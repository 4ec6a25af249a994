"""
HSS Lock Screen
Copyright (c) 2025

NOTICE AND THREAT MODEL:
A soft lock for web development builds. It keeps casual visitors away from a
preview deployment and nothing more. The password is distributed with the
client, there is no server-side verification and no protection against
repeated guessing. The only persisted data is the time of the last successful
unlock, kept in an encrypted store on the local device.
"""

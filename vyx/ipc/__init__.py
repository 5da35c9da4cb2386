"""Binary framing, MessagePack codec and Unix-socket transport for worker IPC."""
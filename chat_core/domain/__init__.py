"""领域层模型与协议。

包含：
- models: Message / ProviderConfig / NormalizedReply 等统一数据结构。
- conversation: 内存中的 ConversationStore（对话记录）。
- exceptions: 业务异常类型定义。
"""

"""学习会话参与度引擎：会话生命周期、内容进度与参与度评分。"""
